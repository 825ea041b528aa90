"""
Live match score collector.
Polls several sources for the same match, gates on the match lifecycle,
flags score disagreement and appends each cycle to a per-match workbook.
"""

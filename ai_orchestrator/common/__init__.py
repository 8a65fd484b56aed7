"""
Common utilities: errors, cost and quality estimation, stream parsing, timing.
"""

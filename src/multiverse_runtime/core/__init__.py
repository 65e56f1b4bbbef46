"""
Worker invocation pipeline: resolution, security scanning, process execution
and result classification.
"""

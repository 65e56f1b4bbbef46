"""
Command line interface for running workers and maintaining shared runtimes
"""

"""
Command line interface for additional stacks.
"""

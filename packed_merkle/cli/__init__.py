"""
Command-line interface for packed-merkle.
"""

"""
aship command line interface.
"""

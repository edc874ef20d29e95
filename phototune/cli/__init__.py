"""
PhotoTune command line interface.
"""

"""
Command-line tools. Run with python -m xandeum_observer.tools.<name>.
"""

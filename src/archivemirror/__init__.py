"""
Archive Mirror: serves an exported website archive from a local directory,
rewriting links that point at the archived site's own hostname so that they
resolve against the local server instead.
"""

APP_NAME = 'Archive Mirror'

__version__ = '1.0.0'

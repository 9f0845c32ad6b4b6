"""
Command-line tools for boardsync.

- transfer_cli: Export, import and migrate the cached state document
"""

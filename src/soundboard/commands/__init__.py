"""Commands - all CLI command implementations.

Commands are run via the CLI, which imports each module lazily so that the
management commands work without the audio extra installed.
"""

"""
Terminal formatting for CLI output.

Modules:
  formatters : ASCII formatters for forecast reports, summaries and profiles.
"""

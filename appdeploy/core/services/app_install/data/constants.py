"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

USER_AGENT = "appdeploy/0.1"

# Read/write block for hashing and streaming downloads.
CHUNK_SIZE = 64 * 1024

# Accept header for the GitHub releases API.
GITHUB_ACCEPT = "application/vnd.github.v3+json"

# Name of the generated PowerShell script inside the staging dir.
BOOTSTRAP_SCRIPT_NAME = "bootstrap-package-manager.ps1"

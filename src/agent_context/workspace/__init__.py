"""Workspace management — the directory of project links.

Provides WorkspaceManager for creating the target directory and linking
selected projects into it, and LinkResult for the per-project outcome.
"""

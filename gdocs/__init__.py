"""
Google Docs MCP Tools Package

This package provides the batch-mutation engine for Google Docs (markdown and
document-copy front ends, batch builder, table engine, multi-phase
orchestrator, snapshots) and the MCP tools built on it. Tool modules register
on import; main.py imports them.
"""

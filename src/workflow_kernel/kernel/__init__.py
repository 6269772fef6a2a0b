"""Workflow kernel components.

Provides:
- Settings loaded from the environment and .env
- Structured logging
- JSON transition table files
- A small CLI surface
- The coordination primitives in :mod:`workflow_kernel.kernel.workflow`
"""

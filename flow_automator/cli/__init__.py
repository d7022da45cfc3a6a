"""CLI command modules for Flow Automator.

Command groups live in their own modules and are registered on the main
Typer app in :mod:`flow_automator.main`.
"""

"""Command-line host for Medic.

Runs build commands or reads saved build logs and reports failures to
the diagnosis plugin.
"""

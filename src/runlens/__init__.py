"""
Runlens: live introspection and telemetry for in-process application graphs.

Answers structural questions (what depends on what, who emits which event,
what an isolation boundary exposes) and live questions (what ran, what
failed, what was logged) over one registry snapshot of a running app.
"""

__version__ = "0.1.0"

"""AlertRoute: emergency alert dispatch and escalation API."""

__version__ = "0.1.0"

"""showingdesk — showing-request assignment with timed escalation."""

__version__ = "0.1.0"

"""Request and response schemas for the KarinPilot API."""

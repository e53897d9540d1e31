"""ApplyHawk: resume personalization, fit scoring and job-page detection."""

__version__ = "0.3.0"

"""MeetAI: live meeting transcription, rolling summaries and Q&A."""

__version__ = "1.0.0"

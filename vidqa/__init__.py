"""
Video Q&A pipeline.

Moves uploaded videos through transcription and question answering,
tracking progress in a status field on each video record.
"""

__version__ = "0.1.0"

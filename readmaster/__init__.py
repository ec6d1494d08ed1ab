"""
Read Master API

Reading and learning service backend
- AI flashcard generation with duplicate filtering
- SM-2 spaced repetition review
- Daily streak and achievement processing
- Similar reader recommendations
- Article import from URLs
"""

__version__ = "1.0.0"
__author__ = "Read Master Team"

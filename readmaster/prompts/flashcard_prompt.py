# readmaster/prompts/flashcard_prompt.py
"""
Flashcard generation prompt templates
"""

FLASHCARD_TYPE_DESCRIPTIONS = {
    "vocabulary": "Important or unusual words from the passage, with a definition in context",
    "concept": "Key ideas, themes or arguments the passage develops",
    "comprehension": "Questions that check understanding of what happens or is said",
    "quote": "Memorable lines, with who said them and why they matter",
}

READING_LEVEL_GUIDANCE = {
    "beginner": "very simple words and short sentences",
    "elementary": "simple vocabulary and clear, concrete explanations",
    "middle_school": "everyday vocabulary with brief explanations of harder terms",
    "high_school": "standard vocabulary and moderately detailed explanations",
    "college": "precise academic vocabulary and nuanced explanations",
    "advanced": "sophisticated vocabulary and in-depth analysis",
}


class FlashcardPrompts:
    """Prompts for turning book passages into study cards"""

    SYSTEM = """
You are an expert study coach who writes spaced-repetition flashcards for readers.
Write for a reader at the {reading_level} level: use {level_guidance}.
Answer in the language with code "{language}".
Respond with JSON only, no commentary.
"""

    GENERATE = """
{greeting}Create {card_count} flashcards from the passage below.

Book: "{title}" by {author}
{book_details}
Card types to include:
{card_types}

Passage:
\"\"\"
{content}
\"\"\"

Cards that already exist for this book (do not repeat them):
{existing_cards}

Return a JSON object in exactly this shape:
{{
  "flashcards": [
    {{
      "type": "vocabulary | concept | comprehension | quote",
      "front": "question or prompt",
      "back": "answer",
      "context": "optional short quote or note from the passage",
      "tags": ["short", "lowercase", "tags"],
      "difficulty": 1
    }}
  ]
}}

Rules:
- "difficulty" is an integer from 1 (easy) to 5 (hard).
- Each front must be answerable from the passage.
- Keep fronts under 200 characters and backs under 500 characters.
"""

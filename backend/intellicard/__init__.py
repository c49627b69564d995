"""IntelliCard: spaced-repetition flashcards with shared card sets."""

__version__ = "0.1.0"

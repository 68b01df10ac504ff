"""Domain services for flashcards and AI generation batches."""

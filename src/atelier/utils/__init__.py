"""Pure helpers for filtering, searching and sorting the gallery."""

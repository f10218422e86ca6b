"""HTTP service exposing the live mind map editor."""

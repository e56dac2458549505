"""Server-rendered HTML surface."""

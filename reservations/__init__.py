"""Table reservations: slot availability and table assignment."""

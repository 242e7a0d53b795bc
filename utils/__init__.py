# Shared helpers for the Atelier backend

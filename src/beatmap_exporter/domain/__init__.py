"""Domain layer: library, filters, selection, collections and export."""

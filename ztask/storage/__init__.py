"""Task storage: the in-memory task store and its JSON file backing."""

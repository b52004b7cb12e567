"""Domain layer: entities shared by adapters, the search engine and storage."""

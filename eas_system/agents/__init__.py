"""Post sifters: keyword pre-filter, disaster classifier, multi-source validator."""

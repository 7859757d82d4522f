"""geminikit command-line interface."""

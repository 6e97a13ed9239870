"""MM-ZH Translator backend."""

"""REST facade over a spaCy document analyzer."""

__version__ = "1.0.0"

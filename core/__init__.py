"""
Core data structures and state management for Ocarina Studio.

Modules:
- models: Immutable data structures (Note, Score, RecognitionResult, etc.)
- constants: Musical constants (diatonic pitches, frequencies, durations)
- fingering: Pitch -> 4-hole fingering lookup and user overrides
- commands: Command pattern for undo/redo
- editor: Score editor model (note list + selection cursor)
- persistence: Score file I/O (.ocarina format)
- backend: Storage service interface and in-memory implementation
- presets: Built-in preset song library
- settings: JSON user settings
"""

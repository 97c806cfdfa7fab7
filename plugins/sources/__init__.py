"""Tone plugins: synthesized ocarina voice and recorded sample player."""

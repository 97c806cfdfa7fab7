"""
Plugin system for Ocarina Studio.

Modules:
- base: Base classes for all tone plugins
- registry: Plugin discovery and management
- sources: Ocarina voice and sample player
"""

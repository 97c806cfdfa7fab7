"""
Score recognition for Ocarina Studio.

Modules:
- image: Image decoding (Pillow) into RGB pixel grids
- recognizer: Staff/notehead detection and pitch mapping
"""

"""SegNet object and image buffer handling."""

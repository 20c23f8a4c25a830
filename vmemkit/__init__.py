"""Virtual and legacy pointer mappers over byte buffers, tuple helpers and a PNG/BMP/TGA writer."""

__version__ = "0.1.0"
__all__ = ["vptr", "legacy", "tuples", "image_write"]
"""ORB feature extraction and binary descriptor matching for grayscale images."""

__version__ = "0.1.0"

__all__ = [
    "keypoint",
    "pattern",
    "descriptor",
    "imaging",
    "fast",
    "octree",
    "extractor",
    "matchutil",
    "wordmatch",
    "projection",
    "matcher",
]
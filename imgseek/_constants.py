"""Shared constants for the imgseek package.

Values fixed by the 3-channel 8-bit pixel format and the default
candidate shortlist size.
"""

# Color channels per pixel.  Alpha and single-channel formats are rejected.
CHANNELS = 3

# Largest value a single 8-bit channel can take.
CHANNEL_MAX = 255

# Default capacity of the ranked candidate shortlist kept by the scan.
CANDIDATE_CAPACITY = 50

# File suffixes picked up by directory traversal (lower case).
IMAGE_SUFFIXES = (".bmp", ".jpeg", ".jpg", ".png", ".ppm", ".tif", ".tiff", ".webp")

"""
Image agent for Nexus.
Generates images, switching to the high-resolution model's widescreen output when selected.
"""
from .handler import ImageHandler

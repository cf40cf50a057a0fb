"""
Video agent for Nexus.
Runs long-running video jobs, polls them to completion and keeps the result bytes.
"""
from .handler import VideoHandler

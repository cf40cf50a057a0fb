"""
Text agent for Nexus.
Answers general, reasoning and web-grounded search requests.
"""
from .handler import TextHandler, extract_grounding_references

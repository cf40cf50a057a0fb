"""Nexus orchestration service: decision engine, capability gate and pipeline coordinator."""

"""Modality agents: one execution handler per task kind."""

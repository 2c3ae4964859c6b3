"""Prompt templates for MedTutor."""

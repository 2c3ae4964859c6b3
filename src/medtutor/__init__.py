"""MedTutor - Socratic Medical Education Tutor.

A retrieval-augmented tutor that answers strictly from uploaded
guideline PDFs, through Socratic questioning or adaptive
case-based exercises.
"""

__version__ = "0.1.0"

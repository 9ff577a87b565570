"""Tutoring guides: the challenge-by-challenge AIGuide and the module-based TeachingGuide."""

"""Careerline: career timeline hierarchy engine."""

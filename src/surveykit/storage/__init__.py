"""Relational storage for SurveyKit."""

"""Domain models for SurveyKit."""

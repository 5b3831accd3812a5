"""Data model, collaborator interfaces, errors and telemetry events."""

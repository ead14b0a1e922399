"""Fill placeholders in .docx legal templates without disturbing their formatting."""

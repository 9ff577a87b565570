"""Generated app projects: models, file handling and persistence."""

"""AI assistant: persona prompt and thread/message operations."""

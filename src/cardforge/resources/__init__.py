"""Static resources such as model prompts."""

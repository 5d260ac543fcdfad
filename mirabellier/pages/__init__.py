"""Server-rendered share pages."""

"""Long-poll chat server."""

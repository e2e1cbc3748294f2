"""Services for scheduling logic and downstream integrations."""

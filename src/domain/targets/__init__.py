"""Goals, milestones and their subscriptions."""

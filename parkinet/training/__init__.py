"""Training loops, schedules and losses for parkinet."""

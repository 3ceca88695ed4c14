"""Issues and submissions: manager dashboard statistics and role work queues."""

"""Document collection outreach backend."""

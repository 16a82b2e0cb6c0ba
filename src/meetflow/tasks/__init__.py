"""Task records -- schemas, persistence, and materialization from action items."""

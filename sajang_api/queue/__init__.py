"""Out-of-process AI analysis dispatch."""

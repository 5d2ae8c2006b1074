"""Live scoring and tabulation service for judged competitions."""

"""Calendar and form store clients."""

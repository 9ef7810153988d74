"""Version 1 of the Ducktylo HTTP API."""

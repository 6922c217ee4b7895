"""HTTP and WebSocket server for Parley."""

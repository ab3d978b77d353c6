"""HTTP routers for sessions and streamed runs."""

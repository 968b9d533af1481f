"""HTTP routers for the audio nodes API."""

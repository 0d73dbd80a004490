"""calcdoc HTTP API: routes and error handling for the FastAPI app."""

"""HTTP service (FastAPI) for the document export pipeline."""

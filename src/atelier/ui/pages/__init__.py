"""Top-level Streamlit pages."""

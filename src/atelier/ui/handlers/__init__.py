"""Session-state handlers behind the Streamlit pages."""

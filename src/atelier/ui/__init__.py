"""Streamlit front-end for atelier."""

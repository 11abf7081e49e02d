"""Streamlit rendering components."""

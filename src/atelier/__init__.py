"""
atelier - Photo portfolio web application with Streamlit

A small portfolio gallery with features including:
- Photo upload to a hosted image service with duplicate detection
- EXIF capture date, keyword and GPS extraction with reverse geocoding
- Tag and location filtering, search suggestions and sorting
- Full-screen lightbox browsing
- Authenticated editing and deletion
"""

__version__ = "0.1.0"
__author__ = "atelier"
__description__ = "Photo portfolio web application with Streamlit"

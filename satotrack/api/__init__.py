"""API routers for SatoTrack"""

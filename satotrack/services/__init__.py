"""Services for SatoTrack"""

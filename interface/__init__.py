"""SQLGrid host and server interfaces"""

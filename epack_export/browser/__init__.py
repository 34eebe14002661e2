"""ePack Export — Live Browser Collaborators (Playwright)"""

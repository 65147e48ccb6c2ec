"""Snake game services: the rules engine, tick scheduling and score storage.

The engine module is pure; the session module glues it to the tick timer,
the score store and Socket.IO so that HTTP routes and socket handlers stay
thin transport layers.
"""

"""
netembot.transport - Chat transports delivering operator messages
"""

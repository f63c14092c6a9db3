"""
netembot.shell - Local cmd2 console for the bot
"""

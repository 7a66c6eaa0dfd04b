"""
Tic Tac Toe backend with move history and time travel.
"""

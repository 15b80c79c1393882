"""
faceid — сервис регистрации и верификации личности по номеру телефона и лицу.
"""

__version__ = "0.1.0"

"""FastAPI HTTP 接口"""

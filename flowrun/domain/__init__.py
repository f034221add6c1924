"""Domain 层：图模型、校验、执行引擎与端口定义"""

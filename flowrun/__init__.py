"""flowrun - 工作流图校验与执行引擎"""

__version__ = "0.1.0"

"""NodeType 枚举 - 节点类型

业务定义：
- NodeType 定义工作流中支持的节点类型
- 每种类型对应一个执行器（见 NodeExecutorRegistry）和一种配置结构（见 node_config）
"""

from enum import Enum


class NodeType(str, Enum):
    """节点类型枚举

    继承 str，可以直接与编辑器传来的字符串比较、序列化为 JSON。

    支持的节点类型：
    - START / END: 入口与出口
    - LLM: 调用聊天补全模型
    - CONDITION: 条件判断（true/false 两个分支）
    - HTTP: HTTP 请求
    - CODE: 代码执行（javascript）
    - PARAMETER: 参数提取
    - TEMPLATE: 模板转换
    - KNOWLEDGE_RETRIEVAL: 知识库检索
    - DELAY: 延时
    - COMMENT: 备注（不参与计算）
    - SUB_WORKFLOW: 子工作流调用（编辑器保存的占位节点，执行时透传上下文）
    """

    START = "start"
    END = "end"
    LLM = "llm"
    CONDITION = "condition"
    HTTP = "http"
    CODE = "code"
    PARAMETER = "parameter"
    TEMPLATE = "template"
    KNOWLEDGE_RETRIEVAL = "knowledge_retrieval"
    DELAY = "delay"
    COMMENT = "comment"
    SUB_WORKFLOW = "sub_workflow"

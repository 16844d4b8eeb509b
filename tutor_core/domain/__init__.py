"""领域层模型与协议。

包含：
- models: Message / Attachment / Subject / RequestOutcome 等统一模型。
- exceptions: 业务异常类型定义（含 Provider 失败分类）。
"""

"""部分更新基类

*Patch 模型的字段均为 X | None：未传入表示不修改，显式 None 表示清空。
实体上必填的字段不能清空，列在 NON_NULLABLE 中，在校验阶段拒绝。
"""

from typing import ClassVar, Self

from pydantic import BaseModel, model_validator


class PatchModel(BaseModel):
    """部分更新基类"""

    NON_NULLABLE: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_cleared_required(self) -> Self:
        cleared = sorted(
            name
            for name in self.NON_NULLABLE & self.model_fields_set
            if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"必填字段不能清空: {', '.join(cleared)}")
        return self

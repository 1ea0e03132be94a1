from sqlalchemy import Enum as SAEnum


class ValueEnum(SAEnum):
    """Enum column type that persists the member values ("pending") rather
    than the member names, stored as VARCHAR with a CHECK constraint."""

    def __init__(self, enum_cls, **kwargs):
        self._enum_cls = enum_cls
        self._enum_kwargs = kwargs.copy()
        kwargs.setdefault("values_callable", lambda enum: [e.value for e in enum])
        kwargs.setdefault("native_enum", False)
        kwargs.setdefault("validate_strings", True)
        super().__init__(enum_cls, **kwargs)

    def adapt(self, impltype, **kw):
        params = {**self._enum_kwargs, **kw}
        return ValueEnum(self._enum_cls, **params)

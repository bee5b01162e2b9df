# cityscope/core/schemas.py
from marshmallow import Schema, EXCLUDE, pre_load


class RequestSchema(Schema):
    """
    요청 본문 검증용 기반 스키마.
    - 알 수 없는 필드는 무시합니다.
    - 검증 전에 문자열 값의 앞뒤 공백을 제거합니다. (trim_exclude에 지정된 키는 제외)
    """
    trim_exclude = ()

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {
            key: value.strip() if isinstance(value, str) and key not in self.trim_exclude else value
            for key, value in data.items()
        }

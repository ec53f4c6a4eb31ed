def is_valid_name(name) -> bool:
    """닉네임/채널 이름 검사: 비어 있지 않고 영문자/숫자로만 구성되어야 함"""
    return isinstance(name, str) and bool(name) and name.isalnum()

"""
内容指纹

SHA-256 摘要，仅用于版本列表展示和去重提示。
指纹相同不代表内容相同，需要判断相等时比较原文。
"""

import hashlib


def compute_fingerprint(content: str) -> str:
    """计算内容指纹（UTF-8 编码后的 SHA-256 十六进制摘要）"""
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


EMPTY_FINGERPRINT = compute_fingerprint("")

"""
退款通知 req_info 解密工具
（1）对加密串做 base64 解码
（2）对商户 key 做 MD5，得到 32 位小写 key
（3）用该 key 做 AES-256-ECB 解密（PKCS7Padding）
"""
import base64
import binascii
import logging

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .sign_utils import md5_hex

logger = logging.getLogger(__name__)


def derive_key(mch_key: str) -> bytes:
    """商户密钥 MD5 小写十六进制，直接作为 AES 密钥字节"""
    return md5_hex(mch_key).lower().encode('utf-8')


def decrypt_req_info(req_info: str, mch_key: str) -> str:
    """解密 req_info，任何失败都记录日志并返回空字符串"""
    try:
        encrypted = base64.b64decode(req_info, validate=True)
        cipher = Cipher(algorithms.AES(derive_key(mch_key)), modes.ECB(), backend=default_backend())
        decryptor = cipher.decryptor()
        padded = decryptor.update(encrypted) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode('utf-8')
    except (ValueError, TypeError, binascii.Error) as e:
        logger.error(f"req_info 解密失败: {e}")
    return ''


def encrypt_req_info(plain_xml: str, mch_key: str) -> str:
    """与 decrypt_req_info 互逆，用于沙箱与测试构造通知报文"""
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plain_xml.encode('utf-8')) + padder.finalize()
    cipher = Cipher(algorithms.AES(derive_key(mch_key)), modes.ECB(), backend=default_backend())
    encryptor = cipher.encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(encrypted).decode('ascii')

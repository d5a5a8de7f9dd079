import os

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from clearance.core.log import get_logger

logger = get_logger(__name__)


def load_or_generate_server_keys(private_path: str, public_path: str):
    """
    Loads the server key pair from disk, generating and saving a new RSA pair
    when either file is missing.
    """
    if os.path.exists(private_path) and os.path.exists(public_path):
        with open(private_path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=None)
        with open(public_path, "rb") as f:
            public_key = serialization.load_pem_public_key(f.read())
        logger.info("Loaded existing server keys from %s", private_path)
        return private_key, public_key

    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )
    public_key = private_key.public_key()

    with open(private_path, "wb") as f:
        f.write(private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption()
        ))
    with open(public_path, "wb") as f:
        f.write(public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ))
    logger.info("Generated new server keys at %s", private_path)

    return private_key, public_key

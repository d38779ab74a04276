# oncedoc_core/constants.py

# Access codes
DEFAULT_CODE_DIGITS = 6
MIN_CODE_DIGITS = 4
MAX_CODE_DIGITS = 9
DEFAULT_MAX_CODE_ATTEMPTS = 64

# Lifecycle
DEFAULT_VALIDITY_MINUTES = 15
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
DEFAULT_SWEEP_INTERVAL_SECONDS = 60

# Blob reads
DEFAULT_READ_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 0.5

# Ciphertext framing: version byte | 12-byte nonce | AES-GCM ciphertext+tag
CIPHER_FORMAT_V1 = 1
KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16

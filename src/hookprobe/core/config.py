# src/hookprobe/core/config.py
default_secret: str = "sk_prod_123456"
default_host: str = "0.0.0.0"
default_port: int = 3000

signature_header_name: str = "X-Super-Signature"
header_display_cap: int = 50

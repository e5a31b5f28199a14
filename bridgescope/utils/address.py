EVM_PREFIX = "0x"


def canonical_address(value: str) -> str:
    """Stored form of an address or transaction hash.

    Hex (``0x``) values are case-insensitive and get lowercased. Base58
    mints and signatures are case-sensitive and are kept as given.
    """
    value = value.strip()
    if value[:2].lower() == EVM_PREFIX:
        return value.lower()
    return value

"""PlantUML text encoding for render service URLs.

PlantUML servers expect the source deflated (raw, no zlib header) and then
base64-encoded with their own URL-safe alphabet.
"""

import zlib

PLANTUML_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def _deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


def _encode_group(b1: int, b2: int, b3: int) -> str:
    return (
        PLANTUML_ALPHABET[b1 >> 2]
        + PLANTUML_ALPHABET[((b1 & 0x3) << 4) | (b2 >> 4)]
        + PLANTUML_ALPHABET[((b2 & 0xF) << 2) | (b3 >> 6)]
        + PLANTUML_ALPHABET[b3 & 0x3F]
    )


def encode_plantuml(source: str) -> str:
    """Encode PlantUML source for a ``/{format}/{encoded}`` render URL.

    Incomplete trailing groups are zero-padded so every group yields four
    characters.
    """
    compressed = _deflate(source.encode("utf-8"))
    groups = []

    for i in range(0, len(compressed), 3):
        chunk = compressed[i : i + 3].ljust(3, b"\x00")
        groups.append(_encode_group(*chunk))

    return "".join(groups)


def decode_plantuml(encoded: str) -> str:
    """Decode a PlantUML URL payload back to source text."""
    values = [PLANTUML_ALPHABET.index(char) for char in encoded]
    data = bytearray()

    for i in range(0, len(values), 4):
        c1, c2, c3, c4 = (values[i : i + 4] + [0, 0, 0])[:4]
        data.append((c1 << 2) | (c2 >> 4))
        data.append(((c2 & 0xF) << 4) | (c3 >> 2))
        data.append(((c3 & 0x3) << 6) | c4)

    # Padding bytes after the end of the deflate stream are ignored.
    decompressor = zlib.decompressobj(-15)
    return decompressor.decompress(bytes(data)).decode("utf-8")

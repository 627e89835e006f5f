class HuffmanError(ValueError): # base for every error raised by the compressor core
    pass


class EmptyInputError(HuffmanError):
    """Raised when a Huffman tree is requested for an empty frequency table."""


class FormatError(HuffmanError):
    """Raised when a container header or code table is truncated or inconsistent."""


class MalformedStreamError(HuffmanError):
    """Raised when payload bits do not resolve to the declared symbol sequence."""

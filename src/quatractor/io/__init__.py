"""PNG encoding and file output."""

from quatractor.io.png import encode_data_url, encode_png, write_png

"""
Helpers for the image relay.

- `regions` : Region extraction (polygon mask, bounding box, fallback crop)
- `images`  : Decoding, saving and resizing images
- `files`   : Upload naming and storage
- `cleanup` : Delayed deletion of request temp files
"""

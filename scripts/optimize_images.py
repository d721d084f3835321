#!/usr/bin/env python
"""Script to optimize local image files with the product upload profile."""
from __future__ import annotations

import argparse
import mimetypes
from pathlib import Path

from catalog_media.config import get_settings
from catalog_media.errors import EncodingFailed
from catalog_media.models import SourceFile
from catalog_media.services import optimizer
from catalog_media.services.storage import product_options
from catalog_media.utils import image_fallback


def main() -> None:
    settings = get_settings()
    defaults = product_options(settings)

    parser = argparse.ArgumentParser(description="Optimize product images before upload")
    parser.add_argument("files", nargs="+", type=Path)
    parser.add_argument("--out_dir", type=Path, default=Path("optimized"))
    parser.add_argument("--max_dim", type=int, default=defaults.max_width)
    parser.add_argument("--quality", type=float, default=defaults.quality)
    parser.add_argument("--format", choices=["webp", "jpeg", "png"], default=defaults.target_format)
    parser.add_argument("--max_kb", type=int, default=defaults.max_bytes // 1024)
    parser.add_argument("--thumbnail", action="store_true", help="Also write a 200px thumbnail")
    parser.add_argument(
        "--background", type=Path, help="Centre each image on this background before optimizing"
    )
    args = parser.parse_args()

    options = defaults.model_copy(
        update=dict(
            max_width=args.max_dim,
            max_height=args.max_dim,
            quality=args.quality,
            target_format=args.format,
            max_bytes=args.max_kb * 1024,
        )
    )
    args.out_dir.mkdir(parents=True, exist_ok=True)

    for path in args.files:
        content_type = mimetypes.guess_type(path.name)[0] or ""
        source = SourceFile(name=path.name, content_type=content_type, data=path.read_bytes())

        validation = optimizer.validate(source)
        if not validation.valid:
            print(f"{path}: skipped ({validation.error})")
            continue
        try:
            if args.background:
                source = image_fallback.composite_with_background(source, args.background)
            image = optimizer.optimize(source, options)
        except EncodingFailed as exc:
            print(f"{path}: failed ({exc})")
            continue

        target = args.out_dir / image.name
        target.write_bytes(image.data)
        print(
            f"{path}: {optimizer.format_file_size(source.size)} -> "
            f"{optimizer.format_file_size(image.size)} {image.resolution} "
            f"q={image.quality:.2f} -> {target}"
        )
        if args.thumbnail:
            thumb = optimizer.generate_thumbnail(source)
            (args.out_dir / f"thumb-{thumb.name}").write_bytes(thumb.data)


if __name__ == "__main__":
    main()

"""tasks/train.py
고장 예측 모델 학습 CLI.

예)
$ python -m tasks.train --data features_engineered.csv --output models/failure_model.txt
$ python -m tasks.train -d features.csv -o models/failure_model.txt --upload s3://pdm-model/models/latest/failure_model.txt
"""
from __future__ import annotations

import argparse
import json
import sys

# FastAPI 애플리케이션 패키지를 import 경로에 추가 (스탠드얼론 실행 대비)
from pathlib import Path
ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(ROOT))

from app.service.train_service import train_and_save


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Train the failure prediction model.")
    parser.add_argument(
        "--data",
        "-d",
        type=str,
        default="features_engineered.csv",
        help="Engineered feature CSV (MachineID, Temperature_last, ..., will_fail_within_2h).",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="models/failure_model.txt",
        help="Where to write the LightGBM text model.",
    )
    parser.add_argument(
        "--upload",
        "-u",
        type=str,
        default=None,
        help="Optional s3://bucket/key to version and promote the artifact to.",
    )
    args = parser.parse_args(argv)

    print(f"🛠️  Train start | data={args.data} output={args.output}")

    result = train_and_save(args.data, args.output, upload_uri=args.upload)

    status = result.get("status")
    if status == "ok":
        print("✅ Train finished ✔")
    else:
        print("❌ Train error:", result)

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if status == "ok" else 1


if __name__ == "__main__":
    sys.exit(main())

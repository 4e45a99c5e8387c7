import asyncio
import io
import os
import tempfile

from dotenv import load_dotenv

from b2client import AsyncB2Client, B2Client, CopyProgress, DownloadRequest, UploadRequest

load_dotenv()


def on_progress(p: CopyProgress) -> None:
    print(
        f"progress: {p.bytes_transferred}/{p.expected_bytes} bytes "
        f"({p.percentage}%, {p.bytes_per_second:.0f} B/s)"
    )


async def main() -> None:
    bucket_id = os.getenv("B2_TEST_BUCKET_ID")
    bucket_name = os.getenv("B2_TEST_BUCKET_NAME")
    assert bucket_id and bucket_name, "Set B2_TEST_BUCKET_ID and B2_TEST_BUCKET_NAME"

    # Credentials come from B2_APPLICATION_KEY_ID / B2_APPLICATION_KEY
    client = AsyncB2Client()
    client_sync = B2Client()

    # 1) Authorize both clients
    info = await client.connect()
    client_sync.connect()
    print("account:", info.account_id, "api:", info.api_url)

    # 2) Upload bytes (async client)
    data = b"hello from python" * 1024
    uploaded = (
        await client.upload(
            UploadRequest(bucket_id, "examples/assets/hello.txt", content_type="text/plain"),
            io.BytesIO(data),
            progress=on_progress,
        )
    ).unwrap()
    print("uploaded:", uploaded.file_name, uploaded.file_id)

    # 3) List file names, following every page (async client)
    async for f in client.iter_file_names(bucket_id, prefix="examples/assets/", batch_size=100):
        print(" -", f.file_name, f.content_length, f.content_type)

    # 4) Upload a local file via upload_file() (async client)
    with tempfile.NamedTemporaryFile("wb", delete=False) as tmp:
        tmp.write(b"this was uploaded using upload_file()\n")
        tmp_local_path = tmp.name
    uploaded_file = (
        await client.upload_file(
            bucket_id,
            "examples/assets/uploaded-from-file.txt",
            tmp_local_path,
            content_type="text/plain",
        )
    ).unwrap()
    print("uploaded (upload_file):", uploaded_file.file_name)
    os.remove(tmp_local_path)

    # 5) Download to disk via download_file() (async client)
    download_path = os.path.join(tempfile.gettempdir(), "downloaded-hello.txt")
    meta = (
        await client.download_file(
            bucket_name, "examples/assets/hello.txt", download_path, progress=on_progress
        )
    ).unwrap()
    print("downloaded to:", download_path, meta.content_length, "bytes")
    os.remove(download_path)

    # 6) Synchronous client: download by id into memory
    buffer = io.BytesIO()
    client_sync.download(DownloadRequest(file_id=uploaded.file_id), buffer).unwrap()
    print("sync download:", len(buffer.getvalue()), "bytes")

    # Cleanup using sync client
    for item in (uploaded, uploaded_file):
        client_sync.delete_file_version(item.file_name, item.file_id).unwrap()
    print("deleted uploaded objects (sync client)")

    client_sync.close()
    await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())

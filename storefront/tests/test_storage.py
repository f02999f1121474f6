import unittest
from urllib.parse import parse_qs, urlparse

from storefront.storage import InMemoryStorageClient, S3StorageClient


class StorageClientTests(unittest.TestCase):
    def test_in_memory_urls(self):
        storage = InMemoryStorageClient()
        self.assertEqual(
            storage.presign_get("product-images/a", expires_in=60),
            "https://example.test/storage/product-images/a?op=get&expires=60",
        )
        self.assertIn("op=put", storage.presign_put("product-images/a"))
        storage.put_bytes("product-images/a", b"data")
        self.assertEqual(storage.stored_objects["product-images/a"], b"data")

    def test_s3_presigned_urls_are_signed_offline(self):
        storage = S3StorageClient(
            bucket="shop-images",
            region="us-east-1",
            endpoint="https://s3.example.test",
            access_key_id="AKIDEXAMPLE",
            secret_access_key="secret",
        )
        get_url = storage.presign_get("product-images/abc", expires_in=300)
        parsed = urlparse(get_url)
        self.assertIn("product-images/abc", parsed.path)
        query = parse_qs(parsed.query)
        self.assertEqual(query["X-Amz-Expires"], ["300"])
        self.assertIn("X-Amz-Signature", query)

        put_url = storage.presign_put("product-images/abc", expires_in=120)
        self.assertIn("X-Amz-Signature", parse_qs(urlparse(put_url).query))


if __name__ == "__main__":
    unittest.main()

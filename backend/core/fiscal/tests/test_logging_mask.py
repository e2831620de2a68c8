import logging

from django.test import SimpleTestCase

from fiscal.logging import MaskSecretsFilter, mask_secrets


class MaskSecretsTests(SimpleTestCase):
    def test_masks_bearer_tokens(self):
        masked = mask_secrets("Authorization failed for Bearer sk_live.abc-123")
        self.assertNotIn("sk_live.abc-123", masked)
        self.assertIn("Bearer ***", masked)

    def test_masks_key_value_pairs(self):
        masked = mask_secrets("api_key=abc123, token: 'xyz' apiKey=q1")
        self.assertNotIn("abc123", masked)
        self.assertNotIn("xyz", masked)
        self.assertNotIn("q1", masked)

    def test_leaves_plain_text_alone(self):
        self.assertEqual(mask_secrets("Service temporarily unavailable"), "Service temporarily unavailable")
        self.assertEqual(mask_secrets(""), "")

    def test_logging_filter_masks_message(self):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="calling provider with %s",
            args=("Bearer secret-token",),
            exc_info=None,
        )
        MaskSecretsFilter().filter(record)
        self.assertIn("Bearer ***", record.msg)
        self.assertNotIn("secret-token", record.msg)
        self.assertEqual(record.getMessage(), record.msg)

    def test_logging_filter_masks_extra_fields(self):
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="configured",
            args=(),
            exc_info=None,
        )
        record.api_key = "abc123"
        MaskSecretsFilter().filter(record)
        self.assertEqual(record.api_key, "***")

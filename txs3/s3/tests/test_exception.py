# Licenced under the txs3 licence available at /LICENSE in the txs3 source.

from twisted.trial.unittest import TestCase

from txs3.s3.exception import S3Error
from txs3.testing import payload


class S3ErrorTestCase(TestCase):

    def test_not_an_error_document(self):
        error = S3Error(b"<dummy />", 400)
        self.assertEqual([], error.errors)
        self.assertIs(None, error.get_error_code())
        self.assertEqual({}, error.details)

    def test_get_error_code(self):
        error = S3Error(payload.sample_s3_invalid_access_key_result, 403)
        self.assertEqual(error.get_error_code(), "InvalidAccessKeyId")
        self.assertTrue(error.has_error("InvalidAccessKeyId"))

    def test_get_error_message(self):
        error = S3Error(payload.sample_s3_invalid_access_key_result, 403)
        self.assertEqual(
            error.get_error_message(),
            ("The AWS Access Key Id you provided does not exist in our "
             "records."))

    def test_error_count(self):
        error = S3Error(payload.sample_s3_invalid_access_key_result, 403)
        self.assertEqual(len(error.errors), 1)

    def test_error_repr(self):
        error = S3Error(payload.sample_s3_invalid_access_key_result, 403)
        self.assertEqual(
            repr(error),
            "<S3Error object with Error code: InvalidAccessKeyId>")

    def test_error_str(self):
        error = S3Error(payload.sample_s3_internal_error_result, 500)
        self.assertEqual(
            "Error InternalError (status 500): We encountered an internal "
            "error. Please try again.",
            str(error))

    def test_request_and_host_id(self):
        error = S3Error(payload.sample_s3_invalid_access_key_result, 403)
        self.assertEqual("0223AD81A94821CE", error.request_id)
        self.assertEqual(
            "HAw5g9P1VkN8ztgLKFTK20CY5LmCfTwXcSths1O7UQV6NuJx2P4tmFnpuOsziwOE",
            error.host_id)

    def test_signature_mismatch_details(self):
        """
        The string S3 signed is available to compare with the one the client
        signed.
        """
        error = S3Error(payload.sample_s3_signature_mismatch, 403)
        self.assertEqual(
            error.get_error_message(),
            ("The request signature we calculated does not match the "
             "signature you provided. Check your key and signing method."))
        self.assertEqual(
            "GET\\n1B2M2Y8AsgTpgAmY7PhCfg==\\n\\n"
            "Thu, 05 Nov 2009 21:33:29 GMT\\n/",
            error.details["StringToSign"])
        self.assertEqual("SOMEKEYID", error.details["AWSAccessKeyId"])
        self.assertNotIn("Code", error.details)

    def test_internal_error_result(self):
        error = S3Error(payload.sample_s3_internal_error_result, 500)
        self.assertEqual("InternalError", error.get_error_code())
        self.assertEqual("A2A7E5395E27DFBB", error.request_id)

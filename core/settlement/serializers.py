from rest_framework import serializers

from .models import ActivationRequest


class ProcessActivationSerializer(serializers.Serializer):
    """
    Input of the operator activation call.

    Expected Body:
        {
            "requestId": "9f2c...",
            "userId": "42",            (optional, must own the request)
            "affiliateCode": "ABC",    (optional, alias: discountCode)
            "schoolCode": "SMA1"       (optional)
        }
    """

    requestId = serializers.CharField(trim_whitespace=True, allow_blank=True, required=False)
    userId = serializers.CharField(trim_whitespace=True, allow_blank=True, required=False)
    affiliateCode = serializers.CharField(
        trim_whitespace=True, allow_blank=True, allow_null=True, required=False
    )
    discountCode = serializers.CharField(
        trim_whitespace=True, allow_blank=True, allow_null=True, required=False
    )
    schoolCode = serializers.CharField(
        trim_whitespace=True, allow_blank=True, allow_null=True, required=False
    )

    def validate(self, attrs):
        # discountCode is the older name of the affiliate code field
        affiliate_code = attrs.get("affiliateCode") or attrs.get("discountCode") or None
        return {
            "request_id": attrs.get("requestId") or "",
            "user_id": attrs.get("userId") or None,
            "affiliate_code": affiliate_code,
            "school_code": attrs.get("schoolCode") or None,
        }


class ActivationRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivationRequest
        fields = [
            "id",
            "user",
            "affiliate_code",
            "school_code",
            "status",
            "source",
            "external_id",
            "amount",
            "processed_by",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields


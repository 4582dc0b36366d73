from aws_cdk import (
    Stack,
    aws_wafv2 as wafv2,
    CfnOutput,
)
from constructs import Construct


class WafStack(Stack):
    """Regional WebACL attached to the internal Matomo ALB.

    Single rule: rate limit per source IP (default 1000 req / 5 min,
    override with the ``waf_rate_limit`` context value).
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        alb_arn: str,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        rate_limit = int(self.node.try_get_context("waf_rate_limit") or 1000)

        def _visibility(metric_name: str) -> wafv2.CfnWebACL.VisibilityConfigProperty:
            return wafv2.CfnWebACL.VisibilityConfigProperty(
                cloud_watch_metrics_enabled=True,
                metric_name=metric_name,
                sampled_requests_enabled=True,
            )

        # --- WebACL ---
        self.web_acl = wafv2.CfnWebACL(
            self,
            "MatomoAlbWaf",
            name="MatomoAlbWebACL",
            default_action=wafv2.CfnWebACL.DefaultActionProperty(
                allow=wafv2.CfnWebACL.AllowActionProperty()
            ),
            scope="REGIONAL",
            visibility_config=_visibility("MatomoAlbWafMetric"),
            rules=[
                wafv2.CfnWebACL.RuleProperty(
                    name=f"RateLimit{rate_limit}Requests5Minutes",
                    priority=2,
                    action=wafv2.CfnWebACL.RuleActionProperty(
                        block=wafv2.CfnWebACL.BlockActionProperty()
                    ),
                    statement=wafv2.CfnWebACL.StatementProperty(
                        rate_based_statement=wafv2.CfnWebACL.RateBasedStatementProperty(
                            limit=rate_limit,
                            aggregate_key_type="IP",
                        ),
                    ),
                    visibility_config=_visibility("RateLimitMetric"),
                ),
            ],
        )

        # --- Associate WAF with ALB ---
        wafv2.CfnWebACLAssociation(
            self,
            "MatomoAlbWafAssociation",
            resource_arn=alb_arn,
            web_acl_arn=self.web_acl.attr_arn,
        )

        # --- Outputs ---
        CfnOutput(self, "WebACLArn", value=self.web_acl.attr_arn)

from aws_cdk import (
    Stack,
    Duration,
    aws_cloudwatch as cloudwatch,
    aws_cloudwatch_actions as cloudwatch_actions,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
)
from constructs import Construct

from matomo.config import EnvironmentConfig

_ALERT_COLOR = "#ff6961"


class MonitoringStack(Stack):
    """SNS alert topic, CPU/memory/unhealthy-host alarms and a dashboard.

    Alarms:
    1. CPU > 85%, 2 of 3 one-minute datapoints
    2. Memory > 85%, 2 of 3 one-minute datapoints
    3. Unhealthy hosts >= 1, 2 of 2 two-minute datapoints
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        fargate_service: ecs.FargateService,
        target_group: elbv2.ApplicationTargetGroup,
        env_config: EnvironmentConfig,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # --- SNS Topic ---
        self.alert_topic = sns.Topic(
            self,
            "MatomoAlertTopic",
            display_name="Matomo Service Alerts",
        )
        for email in env_config.notification_emails:
            self.alert_topic.add_subscription(subscriptions.EmailSubscription(email))

        alarm_action = cloudwatch_actions.SnsAction(self.alert_topic)

        # --- Alarms ---
        cpu_alarm = cloudwatch.Alarm(
            self,
            "MatomoCpuAlarm",
            metric=fargate_service.metric_cpu_utilization(period=Duration.minutes(1)),
            threshold=85,
            evaluation_periods=3,
            datapoints_to_alarm=2,
            comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_THRESHOLD,
            alarm_description="CPU utilization is too high",
        )
        cpu_alarm.add_alarm_action(alarm_action)

        memory_alarm = cloudwatch.Alarm(
            self,
            "MatomoMemoryAlarm",
            metric=fargate_service.metric_memory_utilization(
                period=Duration.minutes(1)
            ),
            threshold=85,
            evaluation_periods=3,
            datapoints_to_alarm=2,
            comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_THRESHOLD,
            alarm_description="Memory utilization is too high",
        )
        memory_alarm.add_alarm_action(alarm_action)

        unhealthy_hosts_alarm = cloudwatch.Alarm(
            self,
            "UnhealthyHostsAlarm",
            metric=target_group.metrics.unhealthy_host_count(
                period=Duration.minutes(2)
            ),
            threshold=1,
            evaluation_periods=2,
            datapoints_to_alarm=2,
            comparison_operator=(
                cloudwatch.ComparisonOperator.GREATER_THAN_OR_EQUAL_TO_THRESHOLD
            ),
            alarm_description="There are unhealthy hosts in the target group",
        )
        unhealthy_hosts_alarm.add_alarm_action(alarm_action)

        # --- Dashboard ---
        dashboard = cloudwatch.Dashboard(
            self,
            "MatomoDashboard",
            dashboard_name="Matomo-Service-Metrics",
        )
        dashboard.add_widgets(
            cloudwatch.GraphWidget(
                title="CPU and Memory Utilization",
                left=[fargate_service.metric_cpu_utilization()],
                right=[fargate_service.metric_memory_utilization()],
                left_annotations=[
                    cloudwatch.HorizontalAnnotation(
                        value=85,
                        label="CPU Alert (>85%, 2/3 points over 3m)",
                        color=_ALERT_COLOR,
                    ),
                ],
                right_annotations=[
                    cloudwatch.HorizontalAnnotation(
                        value=85,
                        label="Memory Alert (>85%, 2/3 points over 3m)",
                        color=_ALERT_COLOR,
                    ),
                ],
            ),
            cloudwatch.GraphWidget(
                title="Request Count and Target Response Time",
                left=[target_group.metrics.request_count()],
                right=[target_group.metrics.target_response_time()],
            ),
            cloudwatch.GraphWidget(
                title="Healthy/Unhealthy Hosts",
                left=[
                    target_group.metrics.healthy_host_count(),
                    target_group.metrics.unhealthy_host_count(),
                ],
                left_annotations=[
                    cloudwatch.HorizontalAnnotation(
                        value=1,
                        label="Unhealthy Hosts Alert (>=1, 2/2 points over 2m)",
                        color=_ALERT_COLOR,
                    ),
                ],
            ),
        )

INSTANCE_STATUS_PROVISIONING = "provisioning"
INSTANCE_STATUS_SUCCEEDED = "succeeded"
INSTANCE_STATUS_FAILED = "failed"

STEP_PRE_PROVISION = "preProvision"
STEP_DEPLOY_ARM_TEMPLATE = "deployARMTemplate"
